# api/index.py
# Serverless entry: the platform imports `app` from here.
from config import configure_logging
from server import app

configure_logging(app.state.settings.log_level)
