"""Interface for the Remote Fetch Capability.

Given a job identifier, asynchronously returns a payload or raises. Latency,
timeouts and retry policy are properties of the implementation, not of the
pipeline that calls it.
"""

import abc
from typing import Any

from ratepipe.domain.models.common import JobId


class RemoteFetcher(abc.ABC):
    """Abstract Base Class for requests against a rate-limited remote service."""

    name: str = "remote"

    @abc.abstractmethod
    async def fetch(self, job_id: JobId) -> Any:
        """Performs the remote request for one job.

        Args:
            job_id: Identifier of the job to execute.

        Returns:
            The success payload (shape depends on the service).

        Raises:
            FetchError: Or any other exception, if the request fails. The
                dispatcher records it as a failure-tagged Result.
        """
        pass

    async def close(self) -> None:
        """Releases any resources (connections, sessions). Optional."""
        pass
