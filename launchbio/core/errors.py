"""Hiérarchie d'erreurs métier, traduites en réponses HTTP dans main.py"""

from typing import Any, Dict, List, Optional


class LaunchBioError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class ValidationError(LaunchBioError):
    """Entrée malformée ou manquante, avec le détail par champ"""

    status_code = 400
    default_message = "Invalid data"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["errors"] = self.errors
        return result


class DuplicateUser(LaunchBioError):
    status_code = 400
    default_message = "User already exists"


class InvalidCredentials(LaunchBioError):
    status_code = 401
    default_message = "Invalid credentials"


class WeakPassword(LaunchBioError):
    status_code = 400
    default_message = "Password is too weak"


class Unauthorized(LaunchBioError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(LaunchBioError):
    status_code = 404
    default_message = "Not found"


class ProUpgradeRequired(LaunchBioError):
    status_code = 403
    default_message = "Launch Pack required for this option"


class NotConfigured(LaunchBioError):
    status_code = 503
    default_message = "Service is not configured"


class PersistenceFailure(LaunchBioError):
    # message générique : le détail reste dans les logs
    status_code = 500
    default_message = "Something went wrong, please try again"


class SignatureInvalid(LaunchBioError):
    status_code = 400
    default_message = "Invalid signature"
