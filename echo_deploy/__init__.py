"""Deploy an HTTP echo container with Pulumi and verify it responds."""

__version__ = "0.1.0"
