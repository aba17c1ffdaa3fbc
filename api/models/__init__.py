from models.schedule import Schedule, ScheduleAssignment
from models.zone import DeliveryZone, ShippingZone
from models.location import FulfillmentLocation
from models.subscription import Subscription

__all__ = [
    "Schedule", "ScheduleAssignment",
    "DeliveryZone", "ShippingZone", "FulfillmentLocation",
    "Subscription",
]
