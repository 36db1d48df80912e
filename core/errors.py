class MOError(Exception):
    """Base class for every error raised by the MO ledger core."""


class NotFound(MOError):
    """Catalog or ledger miss. Recoverable, reported to the caller."""


class LockTimeout(MOError):
    """The issuance critical section could not be acquired in time."""


class TemplateStructureError(MOError):
    """No usable template to merge into. Fatal for the affected document."""


class AssetUnavailable(MOError):
    """Part image could not be resolved; rendered as an in-document marker."""


class RenderFailure(MOError):
    """Converting an assembled document into PDF bytes failed."""


class ExternalServiceError(MOError):
    """Scan-code or notification service failure."""
