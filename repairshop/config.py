import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL")

# Twilio Configuration
# TWILIO_WEBHOOK_URL must be the public URL Twilio posts to. The service runs
# behind a reverse proxy, so the URL seen by the app cannot be used for signing.
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")
TWILIO_WEBHOOK_URL = os.getenv("TWILIO_WEBHOOK_URL")
TWILIO_API_BASE_URL = os.getenv("TWILIO_API_BASE_URL", "https://api.twilio.com/2010-04-01")

# Shop identity used in SMS replies
SHOP_NAME = os.getenv("SHOP_NAME", "Sound Technology Inc")
SHOP_PHONE = os.getenv("SHOP_PHONE", "813-985-1120")
