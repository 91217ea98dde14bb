"""
Настройки приложения бронирования.

Значения читаются из переменных окружения (и файла .env, если он есть):

- ROOM_BOOKING_TOTAL_ROOMS - общее количество номеров (по умолчанию 133)
- ROOM_BOOKING_STORAGE_PATH - путь к JSON-файлу с бронированиями;
  если не задан, бронирования хранятся в памяти
- ROOM_BOOKING_ID_STRATEGY - "uuid" или "sequential"
- ROOM_BOOKING_DEBUG - "true" включает отладочные сообщения логгера
"""

import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from shared_kernel import TOTAL_ROOMS

ENV_PREFIX = "ROOM_BOOKING_"


class Settings(BaseModel):
    """Настройки приложения."""

    total_rooms: int = Field(default=TOTAL_ROOMS, ge=1)
    storage_path: Optional[Path] = None
    id_strategy: Literal["uuid", "sequential"] = "uuid"
    debug: bool = False

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True
    ) -> "Settings":
        """Создает настройки из переменных окружения."""
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        values = {}
        for field_name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()
        return cls.model_validate(values)
