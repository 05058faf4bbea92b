"""
Generic pipeline base class for multi-step workflows with a durable step log.

This module provides a base Pipeline class that can be extended for specific
workflows, providing common functionality for step execution, logging, error
handling, and checkpointing completed steps to Google Cloud Storage so that a
re-delivered trigger resumes where the previous attempt stopped.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .google_storage import GoogleStorageClient
from .pipeline_step import PipelineStep, StepStatus

logger = logging.getLogger(__name__)

CHECKPOINT_VERSION = "2.0"


class PipelineStatus(Enum):
    """Enum for pipeline status values."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class Pipeline:
    """
    Generic base class for multi-step processing pipelines.

    This class provides common functionality for:
    - Step execution with error handling and timing
    - Verbose logging
    - Intermediate result saving
    - Checkpointing after every step and resuming from the checkpoint
    - Step summary reporting
    """

    def __init__(
        self,
        step_definitions: Dict[str, Dict[str, Any]],
        storage_client: Optional[GoogleStorageClient] = None,
        pipeline_name: str = "default_name",
        run_guid: Optional[str] = None,
        run_prefix: str = "process",
        verbose: bool = False,
        save_intermediate: bool = False,
    ):
        """
        Initialize the pipeline.

        Args:
            step_definitions: Ordered dictionary of step definitions with format:
                {
                    "step_name": {
                        "description": "Step description",
                        "function": callable_taking_context,
                        "optional": False  # optional, continue on failure when True
                    }
                }
            storage_client: Client for the bucket holding checkpoints. None disables
                checkpointing and intermediate results.
            pipeline_name: Name used in logs and in the run folder path
            run_guid: Identifier of this run. Passing the same value again
                resumes the same run; defaults to a random UUID.
            run_prefix: Top-level folder for run folders in the state bucket
            verbose: Enable verbose logging (default: False)
            save_intermediate: Save every step result next to the checkpoint (default: False)
        """
        self.storage_client = storage_client
        self.verbose = verbose
        self.save_intermediate = save_intermediate
        self.step_definitions = step_definitions
        self.pipeline_name = pipeline_name

        self.run_guid = run_guid or str(uuid.uuid4())
        self.run_folder = f"{run_prefix.rstrip('/')}/{pipeline_name}/run_{self.run_guid}"
        self.status = PipelineStatus.NOT_STARTED

        self.steps = self._initialize_steps()

        if self.storage_client is None:
            logger.warning(
                f"No state storage configured for {pipeline_name}; steps will not be checkpointed"
            )

    @property
    def checkpoint_blob(self) -> str:
        return f"{self.run_folder}/.checkpoint.json"

    def _initialize_steps(self) -> Dict[str, PipelineStep]:
        steps = {}
        for step_name, step_config in self.step_definitions.items():
            description = step_config.get("description", f"Execute {step_name}")
            steps[step_name] = PipelineStep(step_name, description)
        return steps

    def _log_step(self, step_name: str, message: str, level: str = "info"):
        """Log step message if verbose mode is enabled."""
        if self.verbose or level in ("warning", "error"):
            getattr(logger, level)(f"[{self.pipeline_name}:{step_name}] {message}")

    def _save_step_output(self, step_name: str, data: Any) -> Optional[str]:
        """
        Save step output if save_intermediate is enabled.

        Returns:
            Path of the saved output, or None if nothing was saved
        """
        if not self.save_intermediate or self.storage_client is None:
            return None

        output_path = f"{self.run_folder}/intermediate/{step_name}_result.json"
        try:
            content = json.dumps(data, indent=2, default=str)
        except (TypeError, ValueError) as e:
            self._log_step(step_name, f"Output is not serializable: {e}", "warning")
            return None

        if self.storage_client.upload_from_string(output_path, content):
            self._log_step(step_name, f"Saved output to {output_path}")
            return output_path
        self._log_step(step_name, f"Failed to save output to {output_path}", "warning")
        return None

    def _execute_step(self, step_name: str, func: Callable, context: Dict[str, Any]):
        """
        Execute a pipeline step with error handling and logging.

        Returns:
            Result of the function execution

        Raises:
            Exception: If the step fails
        """
        if step_name not in self.steps:
            raise ValueError(f"Step '{step_name}' not found in pipeline steps")

        step = self.steps[step_name]
        step.start()

        self._log_step(step_name, f"Starting: {step.description}")

        try:
            result = func(context)

            # Check if the result indicates an error
            if isinstance(result, dict) and result.get("status") == StepStatus.ERROR.value:
                error_msg = result.get("error", "Unknown error")
                raise RuntimeError(f"Step {step_name} returned error status: {error_msg}")

            step.complete()
            self._log_step(step_name, f"Completed successfully in {step.duration:.2f}s")
            return result
        except Exception as e:
            step.error(str(e))
            self._log_step(step_name, f"Failed after {step.duration:.2f}s: {e}", "error")
            raise

    def _skip_step(self, step_name: str, reason: str):
        if step_name not in self.steps:
            raise ValueError(f"Step '{step_name}' not found in pipeline steps")

        step = self.steps[step_name]
        step.skip(reason)
        self._log_step(step_name, f"Skipped: {reason}")

    def _get_pipeline_summary(self) -> Dict[str, Any]:
        """Get a summary of all pipeline steps."""
        return {
            "pipeline_name": self.pipeline_name,
            "run_guid": self.run_guid,
            "run_folder": self.run_folder,
            "status": self.status.value,
            "steps": {name: step.to_dict() for name, step in self.steps.items()},
            "total_steps": len(self.steps),
            "completed_steps": len(self._get_completed_steps()),
            "failed_steps": len(self._get_failed_steps()),
        }

    def _save_checkpoint(self, context: Dict[str, Any], completed_steps: List[str]) -> bool:
        """
        Save pipeline checkpoint to storage.

        Returns:
            True if checkpoint saved successfully, False otherwise
        """
        if self.storage_client is None:
            return False

        checkpoint_data = {
            "pipeline_name": self.pipeline_name,
            "run_guid": self.run_guid,
            "status": self.status.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "completed_steps": completed_steps,
            "context": context,
            "steps_summary": {name: step.to_dict() for name, step in self.steps.items()},
            "checkpoint_version": CHECKPOINT_VERSION,
        }

        try:
            checkpoint_content = json.dumps(checkpoint_data, indent=2, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Checkpoint for {self.pipeline_name} is not serializable: {e}")
            return False

        success = self.storage_client.upload_from_string(self.checkpoint_blob, checkpoint_content)
        if success:
            logger.debug(f"Checkpoint saved: {self.checkpoint_blob}")
        else:
            logger.error(f"Failed to save checkpoint: {self.checkpoint_blob}")
        return success

    def _load_checkpoint(self) -> Optional[Dict[str, Any]]:
        """
        Load pipeline checkpoint from storage.

        Returns:
            Checkpoint data dictionary if found and valid, None otherwise
        """
        if self.storage_client is None:
            return None

        checkpoint_content = self.storage_client.download_as_string(self.checkpoint_blob)
        if not checkpoint_content:
            logger.debug(f"No checkpoint found at: {self.checkpoint_blob}")
            return None

        try:
            checkpoint_data = json.loads(checkpoint_content)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt checkpoint {self.checkpoint_blob}: {e}")
            return None

        if not self._validate_checkpoint(checkpoint_data):
            logger.error("Checkpoint validation failed")
            return None

        logger.info(
            f"Loaded checkpoint with {len(checkpoint_data['completed_steps'])} completed steps"
        )
        return checkpoint_data

    def _validate_checkpoint(self, checkpoint_data: Dict[str, Any]) -> bool:
        """Validate checkpoint compatibility with current pipeline."""
        required_fields = ["pipeline_name", "run_guid", "completed_steps", "context"]
        for field in required_fields:
            if field not in checkpoint_data:
                logger.error(f"Checkpoint missing required field: {field}")
                return False

        if checkpoint_data["pipeline_name"] != self.pipeline_name:
            logger.error(
                f"Checkpoint pipeline name mismatch: {checkpoint_data['pipeline_name']} != {self.pipeline_name}"
            )
            return False

        if checkpoint_data["run_guid"] != self.run_guid:
            logger.error(
                f"Checkpoint run_guid mismatch: {checkpoint_data['run_guid']} != {self.run_guid}"
            )
            return False

        for step_name in checkpoint_data["completed_steps"]:
            if step_name not in self.steps:
                logger.error(f"Checkpoint references unknown step: {step_name}")
                return False

        return True

    def _restore_from_checkpoint(self, checkpoint_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Restore step states from checkpoint.

        Returns:
            Restored context dictionary
        """
        steps_summary = checkpoint_data.get("steps_summary", {})
        for step_name, step in self.steps.items():
            if step_name in steps_summary:
                step.restore(steps_summary[step_name])

        logger.info(
            f"Restored pipeline state from checkpoint. Completed steps: {len(checkpoint_data['completed_steps'])}"
        )
        return dict(checkpoint_data["context"])

    def _get_failed_steps(self) -> List[str]:
        return [name for name, step in self.steps.items() if step.status == StepStatus.ERROR]

    def _get_completed_steps(self) -> List[str]:
        return [name for name, step in self.steps.items() if step.status == StepStatus.COMPLETED]

    def run(
        self, context: Optional[Dict[str, Any]] = None, resume_from_checkpoint: bool = True
    ) -> Dict[str, Any]:
        """
        Execute the pipeline by running all steps in order.

        Args:
            context: Optional context dictionary passed to every step; dict
                results of a step are merged into it.
            resume_from_checkpoint: Skip steps a previous attempt of this run completed

        Returns:
            Dictionary with pipeline results
        """
        logger.info(f"Starting {self.pipeline_name} pipeline execution (run {self.run_guid})")
        self.status = PipelineStatus.RUNNING

        if context is None:
            context = {}

        completed_steps: List[str] = []
        already_completed = False
        if resume_from_checkpoint:
            checkpoint_data = self._load_checkpoint()
            if checkpoint_data:
                context = {**context, **self._restore_from_checkpoint(checkpoint_data)}
                completed_steps = list(checkpoint_data["completed_steps"])
                already_completed = checkpoint_data.get("status") == PipelineStatus.COMPLETED.value

        results = {
            "pipeline_name": self.pipeline_name,
            "status": PipelineStatus.RUNNING.value,
            "run_guid": self.run_guid,
            "run_folder": self.run_folder,
            "steps_completed": len(completed_steps),
            "steps_failed": 0,
            "steps_skipped": 0,
            "errors": [],
            "exception": None,
            "context": context,
            "resumed_from_checkpoint": len(completed_steps) > 0,
            "already_completed": already_completed,
        }

        if already_completed:
            self.status = PipelineStatus.COMPLETED
            results["status"] = PipelineStatus.COMPLETED.value
            results["pipeline_summary"] = self._get_pipeline_summary()
            logger.info(f"Run {self.run_guid} already completed; nothing to do")
            return results

        for step_name, step_config in self.step_definitions.items():
            if step_name in completed_steps:
                self._skip_step(step_name, "Already completed (from checkpoint)")
                results["steps_skipped"] += 1
                continue

            try:
                step_result = self._execute_step(step_name, step_config["function"], context)
            except Exception as e:
                results["steps_failed"] += 1
                error_msg = f"Step '{step_name}' failed: {e}"
                results["errors"].append(error_msg)
                results["exception"] = e
                logger.error(error_msg)

                # Save checkpoint even on failure to preserve progress
                if not self._save_checkpoint(context, completed_steps) and self.storage_client:
                    logger.warning(f"Failed to save checkpoint after step failure: {step_name}")

                if self._should_stop_on_error(step_name, step_config):
                    break
                continue

            if isinstance(step_result, dict):
                context.update(step_result)
            elif step_result is not None:
                context[f"{step_name}_result"] = step_result

            self._save_step_output(step_name, step_result)

            results["steps_completed"] += 1
            completed_steps.append(step_name)

            if not self._save_checkpoint(context, completed_steps) and self.storage_client:
                logger.warning(f"Failed to save checkpoint after step: {step_name}")

        if results["steps_failed"] > 0:
            self.status = PipelineStatus.ERROR
            results["status"] = PipelineStatus.ERROR.value
        else:
            self.status = PipelineStatus.COMPLETED
            results["status"] = PipelineStatus.COMPLETED.value
            # The completed checkpoint stays as the record that this run is done
            self._save_checkpoint(context, completed_steps)

        results["pipeline_summary"] = self._get_pipeline_summary()
        results["context"] = context

        logger.info(
            f"Pipeline {self.pipeline_name} finished with status {results['status']}. "
            f"Steps completed: {results['steps_completed']}, Failed: {results['steps_failed']}"
        )
        return results

    def _should_stop_on_error(self, step_name: str, step_config: Dict[str, Any]) -> bool:
        """Stop on error unless the step is marked as optional."""
        return not step_config.get("optional", False)

    def __str__(self) -> str:
        return f"{self.pipeline_name} Pipeline (Run: {self.run_guid[:8]}...)"

    def __repr__(self) -> str:
        return f"Pipeline(name='{self.pipeline_name}', status={self.status.value}, run_guid='{self.run_guid}')"
