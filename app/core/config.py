import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../'))
load_dotenv(os.path.join(BASE_DIR, '.env'))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra='ignore')

    PROJECT_NAME: str = os.getenv('PROJECT_NAME', 'MOTION ANALYZER')
    API_PREFIX: str = '/api'
    BACKEND_CORS_ORIGINS: List[str] = ['*']
    LOGGING_CONFIG_FILE: str = os.path.join(BASE_DIR, 'logging.ini')

    # Gesture engine settings
    TEMPLATE_DIR: str = os.getenv('TEMPLATE_DIR', os.path.join(BASE_DIR, 'data', 'gestures'))
    TEMPLATE_AUTOLOAD: bool = os.getenv('TEMPLATE_AUTOLOAD', 'true').lower() == 'true'
    REFERENCE_JOINT: str = os.getenv('REFERENCE_JOINT', 'hip_center')
    JOINT_HISTORY_SIZE: int = int(os.getenv('JOINT_HISTORY_SIZE', '30'))
    MAX_CAPTURE_FRAMES: int = int(os.getenv('MAX_CAPTURE_FRAMES', '900'))  # ~30s at 30 fps
    DTW_BACKEND: str = os.getenv('DTW_BACKEND', 'exact')  # exact | fast
    DTW_RADIUS: int = int(os.getenv('DTW_RADIUS', '1'))

    # Session logging
    SESSION_LOG_ENABLED: bool = os.getenv('SESSION_LOG_ENABLED', 'false').lower() == 'true'
    SESSION_LOG_DIR: str = os.getenv('SESSION_LOG_DIR', os.path.join(BASE_DIR, 'data', 'logs'))
    SESSION_LOG_MAX_ENTRIES: int = int(os.getenv('SESSION_LOG_MAX_ENTRIES', '1000'))  # in-memory entries; CSV keeps all


settings = Settings()
