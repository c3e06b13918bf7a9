# ==============================================================================
# config.py
# ------------------------------------------------------------------------------
# Configuration settings for the Flask application.
# Uses environment variables for sensitive data to keep them out of version control.
# ==============================================================================

import os
from dotenv import load_dotenv

# Determine the absolute path of the project directory
basedir = os.path.abspath(os.path.dirname(__file__))

# Load environment variables from a .env file located in the project root
load_dotenv(os.path.join(basedir, '.env'))

class Config:
    """
    Base configuration class. Contains default settings that can be overridden
    by environment-specific configurations.
    """
    # --- Security ---
    # Signs the session cookie, which also carries the weekly TDS overrides.
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-should-really-set-a-secret-key-in-your-env-file'

    # PIN given to driver accounts created from the joining form
    DEFAULT_DRIVER_PIN = os.environ.get('DEFAULT_DRIVER_PIN') or '1234'

    # --- Database Configuration ---
    # The database file lives in the 'instance' folder next to the app.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance/app.db')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- Spreadsheet Import Configuration ---
    UPLOAD_FOLDER = os.path.join(basedir, 'instance/uploads')
    ALLOWED_EXTENSIONS = {'.xlsx', '.xls'}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # --- PDF Export ---
    WKHTMLTOPDF_PATH = os.environ.get('WKHTMLTOPDF_PATH') or None
