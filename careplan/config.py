from pathlib import Path

from pydantic_settings import BaseSettings

_DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    reference_data_path: str = str(_DATA_DIR / "health_data.csv")
    reference_load_timeout: float = 10.0
    preload_reference_data: bool = False
    clinics_data_path: str = str(_DATA_DIR / "clinics.json")
    map_center_lat: float = 40.73061
    map_center_lon: float = -73.935242
    map_zoom: int = 10
    cors_origins: str = "*"
    log_format: str = "text"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
