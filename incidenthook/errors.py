# incidenthook/errors.py
"""
Errores del servicio.

Auth/Method se devuelven al cliente (401/405). Persistence/Archive/Notify se
loguean y degradan. InternalError termina en 500 con un código genérico y el
mensaje original en "details".
"""


class IncidentHookError(Exception):
    status_code = 500
    code = "internal_error"


class AuthError(IncidentHookError):
    status_code = 401
    code = "unauthorized"


class MethodError(IncidentHookError):
    status_code = 405
    code = "method not allowed"


class PersistenceError(IncidentHookError):
    """Falló un insert/select/update contra la tabla."""


class ArchiveError(IncidentHookError):
    """Falló el blob store al guardar la evidencia."""


class NotifyError(IncidentHookError):
    """Falló la entrega de una notificación."""


class InternalError(IncidentHookError):
    pass
