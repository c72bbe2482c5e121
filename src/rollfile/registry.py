"""Process-wide ownership of rotating sinks, one per file path."""
import os
from typing import Dict, Iterator, Optional, Union

from .config import SinkConfig
from .log import get_logger
from .sink import Clock, ErrorObserver, RotatingSink

logger = get_logger("rollfile.registry")


class SinkRegistry:
    """Hand out a single RotatingSink per absolute file path.

    Producers asking for the same path share one sink, so one file never
    gets two handles. Sinks live until :meth:`release` or :meth:`close_all`.
    """

    def __init__(
        self,
        observer: Optional[ErrorObserver] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.observer = observer
        self.clock = clock
        self._sinks: Dict[str, RotatingSink] = {}

    def __len__(self) -> int:
        return len(self._sinks)

    def __contains__(self, path) -> bool:
        return self._key(path) in self._sinks

    def __iter__(self) -> Iterator[RotatingSink]:
        return iter(list(self._sinks.values()))

    async def __aenter__(self) -> "SinkRegistry":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close_all()

    @staticmethod
    def _key(path: Union[str, os.PathLike]) -> str:
        return os.path.abspath(os.fspath(path))

    async def acquire(self, config: Union[SinkConfig, str, os.PathLike]) -> RotatingSink:
        """Return the open sink for ``config.path``, creating it on first use.

        Options of later calls for an already registered path are ignored.
        """
        config = SinkConfig.coerce(config)
        # lookup-or-create has no await in between
        key = self._key(config.path)
        sink = self._sinks.get(key)
        if sink is None:
            sink = RotatingSink(config, observer=self.observer, clock=self.clock)
            self._sinks[key] = sink
        elif sink.config != config:
            logger.warning(
                "sink_config_ignored",
                path=config.path,
                requested=repr(config),
                active=repr(sink.config),
            )
        await sink.open()
        return sink

    def get(self, path: Union[str, os.PathLike]) -> Optional[RotatingSink]:
        return self._sinks.get(self._key(path))

    async def release(self, path: Union[str, os.PathLike]) -> bool:
        """Close and forget the sink for ``path``; False if none was held."""
        sink = self._sinks.pop(self._key(path), None)
        if sink is None:
            return False
        await sink.close()
        return True

    async def close_all(self) -> None:
        sinks = list(self._sinks.values())
        self._sinks.clear()
        for sink in sinks:
            await sink.close()
