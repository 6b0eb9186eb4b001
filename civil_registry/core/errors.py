"""
Workflow error taxonomy.

Each error carries the HTTP status it surfaces as and a user-facing
message (French, as shown to citizens and agents). Internal details
never go into `message`.
"""


class WorkflowError(Exception):
    """Base class for errors the API turns into a targeted response."""

    status_code: int = 500
    default_message: str = "Erreur interne du serveur"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(WorkflowError):
    status_code = 401
    default_message = "Non autorisé"


class Forbidden(WorkflowError):
    status_code = 403
    default_message = "Accès refusé"


class ValidationError(WorkflowError):
    status_code = 400
    default_message = "Données invalides"

    def __init__(self, field: str | None = None, message: str | None = None):
        self.field = field
        if message is None and field:
            message = f"Le champ {field} est requis"
        super().__init__(message)


class InvalidStatus(WorkflowError):
    status_code = 400
    default_message = "Statut invalide"

    def __init__(self, status: str | None = None, message: str | None = None):
        self.status = status
        super().__init__(message)


class PayloadTooLarge(WorkflowError):
    status_code = 400
    default_message = "Le fichier est trop volumineux"

    def __init__(self, limit_bytes: int, size_bytes: int):
        self.limit_bytes = limit_bytes
        self.size_bytes = size_bytes
        limit_mb = limit_bytes // (1024 * 1024)
        super().__init__(f"Le fichier est trop volumineux. Taille maximale : {limit_mb}MB")


class NotFound(WorkflowError):
    status_code = 404
    default_message = "Ressource non trouvée"


class UploadFailed(WorkflowError):
    status_code = 500
    default_message = "Erreur lors du téléversement du document"


class PaymentGatewayError(WorkflowError):
    status_code = 500
    default_message = "Erreur lors de la communication avec le service de paiement"


class InternalError(WorkflowError):
    status_code = 500
