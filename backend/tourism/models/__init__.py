"""
Models package for database schemas
"""

from tourism.models.booking import Booking, BookingStatus
from tourism.models.touristguide import TouristGuide
from tourism.models.user import User

__all__ = ["Booking", "BookingStatus", "TouristGuide", "User"]
