import enum
from decimal import Decimal


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Moves the moderation process may make; the owner never changes status
ALLOWED_STATUS_TRANSITIONS = {
    ReportStatus.PENDING: {ReportStatus.APPROVED, ReportStatus.REJECTED},
    ReportStatus.APPROVED: set(),
    ReportStatus.REJECTED: set(),
}


class PayoutMethod(str, enum.Enum):
    DIRECT_DEPOSIT = "Direct Deposit"
    PAYPAL = "PayPal"
    VENMO = "Venmo"


class Resource(str, enum.Enum):
    PROFILE = "profile"
    VIOLATION_TYPE = "violation_type"
    REPORT = "report"
    EVIDENCE = "evidence"


class Operation(str, enum.Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


CENTS = Decimal("0.01")

# Seed catalog: (id, label, fine, icon, description)
VIOLATION_TYPES = [
    ("hydrant", "Fire Hydrant", 115, "🚒", "Within 15ft of hydrant"),
    ("double", "Double Parked", 115, "🚗", "Blocking travel lane"),
    ("bike", "Bike Lane", 175, "🚲", "Blocking bicycle lane"),
    ("bus", "Bus Stop/Lane", 175, "🚌", "In bus zone or lane"),
    ("crosswalk", "Crosswalk", 115, "🚶", "Blocking pedestrian crossing"),
    ("sidewalk", "Sidewalk", 115, "♿", "On sidewalk/ramp"),
]

ALLOWED_EVIDENCE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "heic"}
