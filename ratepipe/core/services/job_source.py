"""Job Source: produces job identifiers and feeds the bounded queue.

Production is paced independently of consumption; the only coupling to the
dispatcher is the queue's backpressure.
"""

import logging
from typing import Iterable, Iterator, Optional

from ratepipe.domain.models.common import EnqueueStatus, Job, JobId, new_job_id
from ratepipe.infrastructure.resilience.bounded_queue import BoundedQueue
from ratepipe.infrastructure.resilience.kill_switch import KillSwitch

logger = logging.getLogger(__name__)


def uuid_ids() -> Iterator[JobId]:
    """Endless stream of random job identifiers."""
    while True:
        yield new_job_id()


class JobSource:
    """Publishes jobs into the queue until stopped or out of identifiers."""

    def __init__(
        self,
        queue: BoundedQueue,
        kill_switch: KillSwitch,
        id_source: Optional[Iterable[str]] = None,
        production_interval_ms: int = 0,
        max_jobs: Optional[int] = None,
    ):
        """Initializes the source.

        Args:
            queue: Destination queue.
            kill_switch: Checked before every production step.
            id_source: Identifiers to publish; endless UUID4s when None.
            production_interval_ms: Pause after each enqueue.
            max_jobs: Stop after this many accepted jobs.
        """
        self.queue = queue
        self.kill_switch = kill_switch
        self._ids = iter(id_source) if id_source is not None else uuid_ids()
        self.production_interval_s = production_interval_ms / 1000.0
        self.max_jobs = max_jobs
        self.produced = 0
        self.rejected = 0
        self.exhausted = False

    async def run(self) -> int:
        """Runs the production loop.

        Returns:
            Number of jobs accepted by the queue.
        """
        logger.info("Job source started.")
        while not self.kill_switch.is_fired():
            if self.max_jobs is not None and self.produced >= self.max_jobs:
                self.exhausted = True
                break
            job_id = next(self._ids, None)
            if job_id is None:
                self.exhausted = True
                break

            status = await self.queue.enqueue(Job(job_id=JobId(str(job_id))))
            if status == EnqueueStatus.CANCELLED:
                logger.debug(f"Enqueue of {job_id} cancelled by kill switch.")
                break
            if status == EnqueueStatus.REJECTED:
                self.rejected += 1
                logger.warning(f"Job {job_id} rejected: queue at capacity ({self.queue.capacity}).")
            else:
                self.produced += 1

            # Also yields to the loop when the interval is zero.
            await self.kill_switch.sleep(self.production_interval_s)

        logger.info(
            f"Job source stopped: {self.produced} produced, {self.rejected} rejected"
            f"{', identifiers exhausted' if self.exhausted else ''}."
        )
        return self.produced
