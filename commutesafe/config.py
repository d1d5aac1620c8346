from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./commutesafe.db"
    DATABASE_ECHO: bool = False

    # Security
    SECRET_KEY: str = "your-secret-key-here"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 240  # 4 hours
    DEFAULT_DISPLAY_NAME: str = "OLFU Student"

    # OLFU Quezon City Campus
    CAMPUS_CENTER_LAT: float = 14.7198
    CAMPUS_CENTER_LNG: float = 121.0449
    GEOFENCE_RADIUS_M: float = 500.0

    # SOS
    SOS_FALLBACK_LAT: float = 14.7033
    SOS_FALLBACK_LNG: float = 121.0633
    SOS_LONG_PRESS_MS: int = 3000
    SOS_DISPLAY_WINDOW_MS: int = 5000
    SOS_DEFAULT_MESSAGE: str = "Emergency SOS Alert!"

    # Friend tracking
    LOCATION_POLL_INTERVAL_MS: int = 10000
    TRACKING_CODE_MAX_ATTEMPTS: int = 10

    # OpenStreetMap services
    OSRM_BASE_URL: str = "https://router.project-osrm.org"
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    HTTP_USER_AGENT: str = "OLFU-QC-CommuteApp/1.0"
    HTTP_TIMEOUT_SECONDS: float = 15.0
    GEOCODE_COUNTRY_CODE: str = "ph"
    GEOCODE_BOUNDS_SOUTH: float = 4.5
    GEOCODE_BOUNDS_NORTH: float = 21.5
    GEOCODE_BOUNDS_WEST: float = 116.0
    GEOCODE_BOUNDS_EAST: float = 127.0

    class Config:
        env_file = ".env"

settings = Settings()
