"""Core data models for addonfleet."""

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field


class Command(str, Enum):
    """Addons command requested on the command line."""

    INSTALL = "install"
    REMOVE = "remove"
    LIST = "list"
    TEST = "test"


class ExitStatus(IntEnum):
    """Process exit codes.

    Only zero-vs-nonzero, ``TESTS_FAILED`` and ``CLUSTER_ERRORS`` are stable
    contracts for calling automation. ``FATAL`` means nothing meaningful ran
    (discovery, credential or runtime setup failure).
    """

    SUCCESS = 0
    TESTS_FAILED = 1
    CLUSTER_ERRORS = 2
    FATAL = 3
    USAGE = 64


class ClusterIdentity(BaseModel):
    """Uniquely addresses one GKE cluster."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="GKE cluster name")
    location: str = Field(..., min_length=1, description="Region or zone")
    project: str = Field(..., min_length=1, description="GCP project ID")

    def __str__(self) -> str:
        return f"{self.project}/{self.location}/{self.name}"


class RunOutcome(BaseModel):
    """Result of running the addons command against one cluster."""

    cluster: str
    succeeded: bool
    error: str | None = None


class RunSummary(BaseModel):
    """Accumulated outcomes of a multi-cluster run."""

    attempted: int = 0
    failed: int = 0
    outcomes: list[RunOutcome] = Field(default_factory=list)

    def record(self, outcome: RunOutcome) -> None:
        """Fold one cluster outcome into the summary.

        Args:
            outcome: Outcome for a single cluster
        """
        self.attempted += 1
        if not outcome.succeeded:
            self.failed += 1
        self.outcomes.append(outcome)

    @property
    def succeeded(self) -> int:
        """Number of clusters the command succeeded on."""
        return self.attempted - self.failed

    @property
    def exit_status(self) -> ExitStatus:
        """Process status for this summary."""
        return ExitStatus.CLUSTER_ERRORS if self.failed else ExitStatus.SUCCESS
