from dataclasses import dataclass, field


@dataclass
class DeliveryFailure:
    notification_id: int
    recipient_id: int
    error: str
    dead_lettered: bool = False


@dataclass
class StageResult:
    """
    Outcome of one notification stage.

    Per-recipient delivery failures are collected here and never abort
    the stage; anything that escapes a stage is a stage-level failure
    and is reported on the PipelineResult instead.
    """

    name: str
    created: int = 0
    sent: int = 0
    skipped: int = 0
    expired: int = 0
    failures: list[DeliveryFailure] = field(default_factory=list)

    @property
    def failed(self):
        return len(self.failures)

    def record_failure(self, notification, error, dead_lettered=False):
        self.failures.append(
            DeliveryFailure(
                notification_id=notification.pk,
                recipient_id=notification.recipient_id,
                error=str(error),
                dead_lettered=dead_lettered,
            )
        )

    def summary(self):
        summary = (
            f"{self.name}: {self.created} created, {self.sent} sent, "
            f"{self.skipped} skipped, {self.failed} failed"
        )
        if self.expired:
            summary += f", {self.expired} expired"
        return summary


@dataclass
class PipelineResult:
    stages: list[StageResult] = field(default_factory=list)
    failed_stage: str | None = None
    error: Exception | None = None

    @property
    def ok(self):
        return self.error is None

    @property
    def delivery_failures(self):
        return [failure for stage in self.stages for failure in stage.failures]

    def stage(self, name):
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def fail(self, stage_name, error):
        self.failed_stage = stage_name
        self.error = error
