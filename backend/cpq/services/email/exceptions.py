"""Quote e-mail exceptions."""

from cpq.services.exceptions import ValidationError


class MissingClientEmail(ValidationError):
    """No recipient address given and the client has none on file."""

    pass


class MissingAttachment(ValidationError):
    """The rendered quote PDF was not provided."""

    pass
