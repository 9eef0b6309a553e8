# ============================================
# FILE: bucketbridge/core/exceptions.py
# ============================================

"""
Engine-level exceptions.

Per-object failures (fetch, integrity, upload) are recorded on the transfer
item and never raised out of a run; see bucketbridge.storage.core.errors.
"""


class BucketBridgeError(Exception):
    """Base bucketbridge error"""


class ConfigurationError(BucketBridgeError):
    """Invalid or incomplete configuration, or a missing precondition"""


class RunInProgressError(BucketBridgeError):
    """A transfer run is already active on this engine"""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(
            f"Transfer run {run_id} is still in progress; wait for it to finish or cancel it"
        )


class InvalidStateTransitionError(BucketBridgeError):
    """Raised when a transfer item is moved along an edge that does not exist."""

    def __init__(self, item_name: str, from_status, to_status):
        self.item_name = item_name
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition for {item_name!r}: {from_status.value} → {to_status.value}"
        )


class MissingDependencyError(BucketBridgeError):
    """
    Raised when an optional dependency is not installed.

    This exception provides clear installation instructions to help users
    quickly resolve missing package issues.
    """

    INSTALL_COMMANDS = {
        "aioboto3": "pip install bucketbridge[s3]",
        "prometheus-client": "pip install bucketbridge[metrics]",
    }

    def __init__(self, package: str, feature: str | None = None):
        self.package = package
        self.feature = feature

        install_cmd = self.INSTALL_COMMANDS.get(package, f"pip install {package}")

        if feature:
            message = (
                f"\n╔══════════════════════════════════════════════════════════════╗\n"
                f"║  Missing Dependency: {package:<40} ║\n"
                f"╠══════════════════════════════════════════════════════════════╣\n"
                f"║  Required for: {feature:<45} ║\n"
                f"║  Install with: {install_cmd:<45} ║\n"
                f"╚══════════════════════════════════════════════════════════════╝"
            )
        else:
            message = (
                f"\n╔══════════════════════════════════════════════════════════════╗\n"
                f"║  Missing Dependency: {package:<40} ║\n"
                f"╠══════════════════════════════════════════════════════════════╣\n"
                f"║  Install with: {install_cmd:<45} ║\n"
                f"╚══════════════════════════════════════════════════════════════╝"
            )

        super().__init__(message)
