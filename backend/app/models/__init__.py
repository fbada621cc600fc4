from app.models.attendee import Attendee
from app.models.dinner_group import DinnerGroup
from app.models.restaurant import Restaurant

__all__ = [
    "Attendee",
    "DinnerGroup",
    "Restaurant",
]
