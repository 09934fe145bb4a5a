from app.models.tenants import User, Property, Tenant
from app.models.audit_log import ReminderLog, EventLog
from app.models.feature_flag import FeatureFlag

__all__ = ["User", "Property", "Tenant", "ReminderLog", "EventLog", "FeatureFlag"]
