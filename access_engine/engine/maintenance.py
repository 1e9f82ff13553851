# (c) Copyright Datacraft, 2026
"""Periodic background maintenance."""
import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class MaintenanceTask:
	"""
	Runs a coroutine function on a fixed interval until stopped.

	The first run happens one interval after start. A failing run is
	logged and the schedule continues.
	"""

	def __init__(
		self,
		callback: Callable[[], Awaitable[Any]],
		interval: timedelta,
		name: str = "access-engine-maintenance",
	):
		if interval.total_seconds() <= 0:
			raise ValueError("interval is expected to be positive")
		self.callback = callback
		self.interval = interval
		self.name = name
		self.runs = 0
		self._task: asyncio.Task | None = None

	@property
	def is_running(self) -> bool:
		return self._task is not None and not self._task.done()

	def start(self) -> None:
		"""Schedule the loop on the running event loop."""
		if self.is_running:
			return
		self._task = asyncio.create_task(self._run(), name=self.name)
		logger.info(f"Started {self.name} every {self.interval.total_seconds()}s")

	async def stop(self) -> None:
		"""Cancel the loop and wait for it to finish."""
		task, self._task = self._task, None
		if task is None:
			return
		task.cancel()
		try:
			await task
		except asyncio.CancelledError:
			pass
		logger.info(f"Stopped {self.name}")

	async def _run(self) -> None:
		while True:
			await asyncio.sleep(self.interval.total_seconds())
			try:
				await self.callback()
			except Exception:
				logger.exception(f"{self.name} run failed")
			self.runs += 1
