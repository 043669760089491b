from boom_booking.models.tenant import Tenant
from boom_booking.models.user import User
from boom_booking.models.room import Room
from boom_booking.models.business_hours import BusinessHours
from boom_booking.models.booking import Booking
