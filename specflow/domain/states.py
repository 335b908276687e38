from enum import StrEnum, auto


class JobStatus(StrEnum):
    PENDING = auto()    # Created, operation still running
    SUCCEEDED = auto()  # Completed successfully
    FAILED = auto()     # Spawn error, non-zero exit, timeout or upstream error

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


class JobKind(StrEnum):
    TEST_RUN = "test-run"
    GENERATION = "generation"


class UseCaseStatus(StrEnum):
    NEW = auto()
    IN_PROGRESS = auto()
    COMPLETED = auto()
    DEPRECATED = auto()
