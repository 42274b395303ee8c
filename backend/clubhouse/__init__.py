"""Class-booking backend for the club: schedule resolution and reservations."""

__version__ = "0.1.0"
