import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists, for local development
# In production, environment variables should be set directly.
if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_TEMPLATES_PATH = PROJECT_ROOT / "assets" / "vpk_templates.yml"


class VPKSettings(BaseSettings):
    templates_path: str = str(DEFAULT_TEMPLATES_PATH)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix='VPK_')


# Instantiate settings
vpk_settings = VPKSettings()
