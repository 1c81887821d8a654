"""Result sink adapters implementing the ResultSink port."""

from ratepipe.infrastructure.sinks.result_sinks import (
    CallbackSink,
    ChannelSink,
    CollectingSink,
    FanOutSink,
)

__all__ = ["CallbackSink", "ChannelSink", "CollectingSink", "FanOutSink"]
