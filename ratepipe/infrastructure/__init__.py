"""Infrastructure Layer: contains concrete implementations and adapters.

Holds the asyncio flow-control primitives (queue, dispatcher, kill switch),
the fetch adapters, result sinks, configuration, logging and the console UI.
"""
