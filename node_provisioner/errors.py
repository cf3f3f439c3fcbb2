"""
Node Provisioner Errors
=======================

Error kinds raised by catalog resolution, order selection and the
provisioning state machine. Remote collaborator failures live with the
provider interface in ``node_provisioner.providers.base``.
"""

from typing import List, Optional, Tuple


class ProvisioningError(Exception):
    """Base exception for provisioning errors."""
    pass


class ConfigurationError(ProvisioningError):
    """Unknown server family or malformed category/regex configuration."""
    pass


class CatalogResolutionError(ProvisioningError):
    """A catalog item required by a hardware profile could not be resolved."""
    pass


class UnsupportedOperation(ProvisioningError):
    """The server family does not support the requested operation."""
    pass


class CombinationExhausted(ProvisioningError):
    """
    No price combination passed remote order verification.

    Attributes:
        candidates: Every candidate combination that was tried, in order
        rejections: (candidate, reason) pairs for each rejection
        last_reason: Reason given for the last rejection, if any
    """

    def __init__(self, candidates: List[str], rejections: List[Tuple[str, str]]):
        self.candidates = list(candidates)
        self.rejections = list(rejections)
        self.last_reason: Optional[str] = rejections[-1][1] if rejections else None
        if not self.candidates:
            message = "No price combinations to verify"
        else:
            message = (
                f"Failed validating prices combinations for: {';'.join(self.candidates)}. "
                f"Last rejection: {self.last_reason}"
            )
        super().__init__(message)


class StageTimeout(ProvisioningError):
    """
    A provisioning stage did not reach its goal within its configured delay.

    Attributes:
        stage: Name of the stage that timed out
        timeout: Configured timeout for the stage, in seconds
        subject: What was being waited on (hostname, node id)
    """

    def __init__(self, stage: str, timeout: float, subject: str = "", message: str = ""):
        self.stage = stage
        self.timeout = timeout
        self.subject = subject
        if not message:
            message = f"stage {stage} did not complete within {timeout}s"
            if subject:
                message = f"{subject}: {message}"
        super().__init__(message)
