# ===== SERVICES INTEGRATION LAYER =====
"""
Shared service layer for the KorX backend.

Modules:
- business_logic: pure property-hierarchy rules and input cleaning
- places: Google Places nearby-search client
- nearby: cached nearby-places lookups for properties
- mailer: outbound email for the password reset flow

Every service failure raises one of the exceptions below so views can map
them to HTTP responses in one place.
"""

import logging

logger = logging.getLogger(__name__)


# =============================================================================
# SERVICE INTEGRATION EXCEPTIONS
# =============================================================================

class ServiceIntegrationError(Exception):
    """Base exception for service integration errors."""
    pass


class PlacesServiceError(ServiceIntegrationError):
    """Raised when the Google Places API cannot be reached or parsed."""
    pass


class BusinessRuleError(ServiceIntegrationError):
    """
    Raised when a request breaks a property rule.

    Carries the HTTP status the view should answer with.
    """

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
