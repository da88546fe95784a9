from typing import Dict, List, Optional

class ServiceError(ValueError):
    """Base class for business-rule failures raised by the service layer"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class NotFoundError(ServiceError):
    pass

class ValidationError(ServiceError):
    pass

def _value(value):
    return getattr(value, "value", value)

def reservation_summary(reservation) -> Dict:
    """Plain-data view of a reservation, safe to use after the session is gone"""
    return {
        "id": reservation.id,
        "vehicle_id": reservation.vehicle_id,
        "customer_id": reservation.customer_id,
        "start_date": reservation.start_date.isoformat() if reservation.start_date else None,
        "end_date": reservation.end_date.isoformat() if reservation.end_date else None,
        "status": _value(reservation.status),
        "type": _value(reservation.type),
    }

class ConflictError(ServiceError):
    """Raised when a change would double-book a vehicle or duplicate a unique value"""

    def __init__(self, message: str, conflicts: Optional[List] = None):
        super().__init__(message)
        self.conflicts = [
            c if isinstance(c, dict) else reservation_summary(c)
            for c in (conflicts or [])
        ]

class StatusTransitionError(ServiceError):
    pass
