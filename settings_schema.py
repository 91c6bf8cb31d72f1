from typing import Literal, Optional

from pydantic import BaseModel, ValidationError


class SettingsSchema(BaseModel):
    db_path: str = "workout.db"
    backup_dir: str = "backups"
    export_dir: str = "exports"
    weight_unit: Literal["kg", "lb"] = "kg"
    distance_unit: Literal["km", "miles"] = "km"
    import_timeout: float = 30.0
    seed_on_init: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    import_token: Optional[str] = None


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
