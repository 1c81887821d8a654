"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes) that infrastructure components
must implement. The pipeline depends on these interfaces, not on concrete
exchange clients, sinks or consoles.
"""
