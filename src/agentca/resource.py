from typing import Any, Sequence


class Resource:
    """
    A named, long-lived object whose mutations run as jobs. The job manager
    calls `create` for CREATE jobs, `update` for UPDATE jobs and `destroy`
    for DELETE jobs, passing the job's args.
    """

    def __init__(self, name: str):
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def exists(self) -> bool:
        raise NotImplementedError()

    def create(self, *args) -> Any:
        raise NotImplementedError()

    def update(self, *args) -> Any:
        raise NotImplementedError()

    def destroy(self, *args) -> Any:
        raise NotImplementedError()


class ResourceManager:
    """
    Registry and store for one kind of resource. Must tolerate concurrent
    calls for different names; per-name ordering is the job manager's job.
    """

    type_name = "resource"

    def get(self, name: str) -> Resource:
        """Return the named resource or raise ResourceNotFound."""
        raise NotImplementedError()

    def list(self) -> Sequence[Any]:
        raise NotImplementedError()

    def instantiate(self, name: str) -> Resource:
        """Return a fresh, not yet created resource bound to `name`."""
        raise NotImplementedError()

    def __str__(self):
        return self.type_name
