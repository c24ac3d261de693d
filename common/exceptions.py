class GeoAuthorizationError(Exception):
    """Base exception for the geographic authorization engine"""
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}

class AuthorizationDenied(GeoAuthorizationError):
    """Raised when the caller lacks the access level a geographic area requires"""
    code = "GEOGRAPHIC_AUTHORIZATION_DENIED"
    status_code = 403

    def __init__(self, message: str = "You do not have permission to access this geographic area", details: dict = None):
        super().__init__(message, details)

class NotFound(GeoAuthorizationError):
    """Raised when a referenced area or rule does not exist"""
    code = "NOT_FOUND"
    status_code = 404

class InvalidInput(GeoAuthorizationError):
    """Raised for malformed IDs and out-of-range batch sizes or depths"""
    code = "VALIDATION_ERROR"
    status_code = 400

class DuplicateRule(GeoAuthorizationError):
    """Raised when a second rule is created for the same (user, area) pair"""
    code = "DUPLICATE_AUTHORIZATION_RULE"
    status_code = 409

    def __init__(self, message: str = "Authorization rule already exists for this user and geographic area", details: dict = None):
        super().__init__(message, details)
