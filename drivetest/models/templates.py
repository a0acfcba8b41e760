"""Test template Pydantic models."""
from pydantic import Field

from drivetest.models.tests import TestConfiguration


class TemplateCreate(TestConfiguration):
    """Model for saving a test configuration."""

    name: str = Field(..., min_length=1, max_length=255)

