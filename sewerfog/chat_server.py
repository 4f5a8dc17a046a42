"""Chat webhook server that answers with reach summaries."""

from __future__ import annotations

import sys
import threading
from typing import TextIO

from .chat import ReachStatus, make_reach_summary
from .config import ChatConfig

_SAMPLE_STATUS = ReachStatus(
    reach_id="PHX-FOG-REACH-01",
    risk_score=0.65,
    daily_karma=180.0,
    delta_karma_24h=15.0,
    top_basins=["Downtown-Restaurant-Cluster", "Mixed-Use-Basin-02"],
)


class ChatServer:
    """Announces its address, prints a sample summary and then serves forever."""

    def __init__(
        self, address: str, port: int, *, block: bool = True, out: TextIO | None = None
    ) -> None:
        self.address = address
        self.port = port
        self._block = block
        self._out = out

    def run(self) -> str:
        """Start serving; returns the sample summary when not blocking."""
        out = self._out or sys.stdout
        print(f"Chat webhook server listening on {self.address}:{self.port}", file=out)
        summary = make_reach_summary(_SAMPLE_STATUS)
        print(f"Sample chat summary: {summary}", file=out)
        if self._block:
            threading.Event().wait()
        return summary


def main(argv: list[str] | None = None) -> int:
    """Run the chat server from environment settings until interrupted."""
    cfg = ChatConfig.from_env()
    try:
        ChatServer(cfg.listen_address, cfg.listen_port).run()
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())