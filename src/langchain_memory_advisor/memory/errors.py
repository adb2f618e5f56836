"""
Errors raised by the memory advisor.

- InvalidConfiguration: bad builder input, raised by build() only
- UpstreamFailure: the store's read path failed, fails the request
- WriteFailure: the store's write path failed, logged and never propagated
"""


class InvalidConfiguration(ValueError):
    """Raised when a MemoryAdvisorConfig cannot be built."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UpstreamFailure(RuntimeError):
    """Raised when memory retrieval from the store fails."""


class WriteFailure(RuntimeError):
    """Raised by a store when persisting memory documents fails."""
