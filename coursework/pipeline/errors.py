"""Exceptions raised while running the paper pipeline."""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class StageError(PipelineError):
    """A stage failed. The message is prefixed with the stage label."""

    def __init__(self, stage, message: str):
        self.stage = stage
        self.reason = message
        super().__init__(f"{stage.label} failed: {message}")


class PlanningError(PipelineError):
    """The planner returned an outline the pipeline cannot use."""


class RenderError(PipelineError):
    """The Word document could not be produced."""
