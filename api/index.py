"""Vercel entry point: serves the survey Flask app from the project root."""
import sys
import os

# Add project root to PYTHONPATH so the `survey` package and web_survey resolve
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from web_survey import app  # noqa: F401  (Vercel detects `app`)
