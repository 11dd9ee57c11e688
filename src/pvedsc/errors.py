"""Exception hierarchy for the reconciliation engine."""

from typing import List, Optional


class DscError(Exception):
    """Base class for all pvedsc errors."""


class LockContention(DscError):
    """The execution lock could not be acquired within its wait bound."""

    def __init__(self, path: str, waited: float):
        super().__init__(f"Could not acquire lock {path} within {waited:.0f}s")
        self.path = path
        self.waited = waited


class ManifestError(DscError):
    """The manifest cannot be used for this run."""


class ManifestMissing(ManifestError):
    """The manifest file does not exist."""


class ManifestInvalid(ManifestError):
    """The manifest file cannot be parsed."""


class TypeConflict(DscError):
    """Declared resource type disagrees with what exists on the host."""

    def __init__(self, vmid: int, declared: str, observed: str):
        super().__init__(
            f"ID Conflict: {vmid} is defined as {declared} but exists as {observed}. Skipping."
        )
        self.vmid = vmid
        self.declared = declared
        self.observed = observed


class ProvisioningError(DscError):
    """A declared resource could not be created."""


class CommandFailure(DscError):
    """A platform command exited unsuccessfully."""

    def __init__(
        self,
        cmd: List[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = message or (stderr.strip() or stdout.strip() or f"exit code {returncode}")
        super().__init__(f"Command failed: {' '.join(self.cmd)}: {detail}")


class CommandTimeout(CommandFailure):
    """A platform command exceeded its timeout and was killed."""

    def __init__(self, cmd: List[str], timeout: float):
        self.timeout = timeout
        super().__init__(cmd, -1, message=f"timed out after {timeout}s")
