"""Domain Layer: value objects, ports and events of the admission pipeline.

Nothing in here depends on asyncio primitives or concrete adapters.
"""
