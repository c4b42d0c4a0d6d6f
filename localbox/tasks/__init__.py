"""
Task-queue units over the sandbox runtime, with bounded retries.
"""
from localbox.tasks.retry import RetryPolicy, run_with_retry
from localbox.tasks.definitions import TASKS, TaskDefinition, TaskRunner, task

__all__ = ["RetryPolicy", "run_with_retry", "TASKS", "TaskDefinition", "TaskRunner", "task"]
