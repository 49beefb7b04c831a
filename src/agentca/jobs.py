import logging
import threading
import uuid
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum, unique
from typing import Any, Callable, Deque, Dict, Optional, Sequence, Tuple

from pydantic import BaseModel

from .errors import JobDispatchError, ResourceExists, ResourceNotFound
from .resource import Resource, ResourceManager


logger = logging.getLogger(__name__)


@unique
class JobOperation(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@unique
class JobState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    JobState.PENDING: {JobState.RUNNING},
    JobState.RUNNING: {JobState.SUCCEEDED, JobState.FAILED},
    JobState.SUCCEEDED: set(),
    JobState.FAILED: set(),
}

# Resource method invoked for each operation.
_METHODS = {
    JobOperation.CREATE: "create",
    JobOperation.UPDATE: "update",
    JobOperation.DELETE: "destroy",
}


class JobOutcome(BaseModel):
    job_id: str
    operation: JobOperation
    resource_type: str
    resource_name: str
    status: JobState
    result: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class Job:
    """
    One mutating intent against one named resource. The job manager owns
    every state transition; callers only submit and then observe.
    """

    def __init__(self, resource_type: ResourceManager, resource_name: str,
                 operation: JobOperation, args: Sequence[Any] = ()):
        if not resource_name:
            raise JobDispatchError("A job needs a non-empty resource name")

        self._id = uuid.uuid4().hex
        self._resource_type = resource_type
        self._resource_name = resource_name
        self._operation = JobOperation(operation)
        self._args = tuple(args)
        self._state = JobState.PENDING
        self._submitted = False
        self._error: Optional[BaseException] = None
        self._lock = threading.Lock()
        self._future: Future = Future()

    @property
    def id(self) -> str:
        return self._id

    @property
    def resource_type(self) -> ResourceManager:
        return self._resource_type

    @property
    def resource_name(self) -> str:
        return self._resource_name

    @property
    def operation(self) -> JobOperation:
        return self._operation

    @property
    def args(self) -> Tuple[Any, ...]:
        return self._args

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def key(self) -> Tuple[ResourceManager, str]:
        return (self._resource_type, self._resource_name)

    def describe(self) -> str:
        return f"{self._operation.value} {self._resource_type}/{self._resource_name}"

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        """
        Block until the job finishes and return its result, or raise the
        error it failed with. A timeout only stops the wait; the job itself
        keeps running.
        """
        return self._future.result(timeout)

    def wait(self, timeout: Optional[float] = None) -> JobOutcome:
        self._future.exception(timeout)
        return self.outcome()

    def add_done_callback(self, fn: Callable[["Job"], Any]):
        self._future.add_done_callback(lambda _: fn(self))

    def outcome(self) -> JobOutcome:
        if not self.done():
            raise JobDispatchError(f"Job {self._id} ({self.describe()}) has not finished")

        if self._error is None:
            details = {"result": self._future.result()}
        else:
            details = {
                "error": f"{self.describe()} failed: {self._error}",
                "error_type": type(self._error).__name__,
            }

        return JobOutcome(
            job_id=self._id,
            operation=self._operation,
            resource_type=str(self._resource_type),
            resource_name=self._resource_name,
            status=self._state,
            **details,
        )

    def _mark_submitted(self):
        with self._lock:
            if self._submitted:
                raise JobDispatchError(f"Job {self._id} ({self.describe()}) was already submitted")
            self._submitted = True

    def _transition(self, new_state: JobState):
        with self._lock:
            if new_state not in _TRANSITIONS[self._state]:
                raise JobDispatchError(
                    f"Job {self._id} cannot move from {self._state.value} to {new_state.value}"
                )
            self._state = new_state

    def _start(self):
        self._transition(JobState.RUNNING)
        self._future.set_running_or_notify_cancel()

    def _succeed(self, result: Any):
        self._transition(JobState.SUCCEEDED)
        self._future.set_result(result)

    def _fail(self, error: BaseException):
        self._error = error
        self._transition(JobState.FAILED)
        self._future.set_exception(error)

    def __repr__(self):
        return f"<Job {self._id} {self.describe()} {self._state.value}>"


class JobManager:
    """
    Runs jobs on a thread pool. Jobs for the same (resource type, resource
    name) run one at a time in submission order; jobs for different
    resources may run in parallel.
    """

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="job")
        self._cond = threading.Condition()
        # present key == a job for that resource is in flight; the deque
        # holds the jobs waiting behind it
        self._queues: Dict[Tuple[ResourceManager, str], Deque[Job]] = {}
        self._accepting = True

    def run(self, job: Job) -> Job:
        with self._cond:
            if not self._accepting:
                raise JobDispatchError(f"Job manager is shutting down, rejected {job.describe()}")

            job._mark_submitted()
            logger.debug("Submitted job %s (%s)", job.id, job.describe())

            waiting = self._queues.get(job.key)
            if waiting is not None:
                waiting.append(job)
                logger.debug("Queued job %s behind %d other job(s)", job.id, len(waiting))
                return job

            self._queues[job.key] = deque()

        self._executor.submit(self._execute, job)
        return job

    def busy(self) -> bool:
        with self._cond:
            return bool(self._queues)

    def shutdown(self, wait: bool = True):
        """
        Stop accepting jobs. Already submitted jobs, queued ones included,
        always run to completion; `wait` only decides whether to block
        until they have.
        """
        with self._cond:
            self._accepting = False
            if wait:
                while self._queues:
                    self._cond.wait()
            idle = not self._queues

        if idle:
            self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown(wait=True)

    def _execute(self, job: Job):
        job._start()
        try:
            resource = self._resolve(job)
            result = getattr(resource, _METHODS[job.operation])(*job.args)
        except BaseException as e:
            logger.warning("Job %s (%s) failed: %s", job.id, job.describe(), e)
            job._fail(e)
            if not isinstance(e, Exception):
                raise
        else:
            logger.info("Job %s (%s) succeeded", job.id, job.describe())
            job._succeed(result)
        finally:
            self._release(job)

    def _resolve(self, job: Job) -> Resource:
        manager = job.resource_type

        if job.operation is not JobOperation.CREATE:
            return manager.get(job.resource_name)

        try:
            existing = manager.get(job.resource_name)
        except ResourceNotFound:
            return manager.instantiate(job.resource_name)

        if existing.exists():
            raise ResourceExists(f"{manager}/{job.resource_name} already exists")
        return existing

    def _release(self, job: Job):
        with self._cond:
            waiting = self._queues[job.key]
            if waiting:
                next_job = waiting.popleft()
            else:
                next_job = None
                del self._queues[job.key]
                self._cond.notify_all()
            shutdown_now = not self._queues and not self._accepting

        if next_job is not None:
            self._executor.submit(self._execute, next_job)
        elif shutdown_now:
            self._executor.shutdown(wait=False)
