"""Import all models to register them with SQLAlchemy metadata."""
from spotted.models.base import Base
from spotted.models.user import AuthAccount, Profile
from spotted.models.violation import ViolationType
from spotted.models.report import Report
