"""Insights domain exceptions."""

from cpq.services.exceptions import ValidationError


class InsightsInputTooLarge(ValidationError):
    """Business data exceeds what may be sent to the model."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"Insights input is {size} characters, the limit is {max_size}")
