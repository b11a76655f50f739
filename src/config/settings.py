"""Global relay settings"""

import string

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized configuration.
    Reads configs from env variables.
    """

    app_name: str = "Ephemeral Relay"
    server_host: str = "0.0.0.0"
    server_port: int = 8000

    log_level: str = "INFO"

    # Room limits
    max_room_members: int = 10
    default_room_ttl_ms: int = 10 * 60 * 1000

    # Rooms normally linger until their timer fires, even when empty.
    delete_empty_rooms: bool = False

    # Room code format
    room_code_length: int = 6
    room_code_alphabet: str = string.ascii_uppercase + string.digits
    room_code_max_attempts: int = 10

    # Enables DELETE /api/rooms/{code} when set
    admin_token: str | None = None

    static_dir: str = "src/static"

    model_config = {"env_file": ".env"}


settings = Settings()
