# backend/lib/eleca_core/errors.py


class ValidationError(ValueError):
    """Raised for a malformed appliance, log or configuration record."""


class ConfigurationError(ValueError):
    """Raised for a tariff schedule the engine refuses to bill against."""
