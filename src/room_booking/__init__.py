"""
Модуль контекста бронирования (Booking Context).

Отвечает за бронирование номеров общего пула под программы, включая:
- Проверку доступности номеров по дням
- Допуск новых бронирований с вытеснением предварительных подтвержденными
- Изменение и удаление бронирований
"""

from . import application, domain, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "infrastructure",
    "interfaces",
]
