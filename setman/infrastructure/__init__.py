"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (disk store, configuration
files, environment, console) by implementing the interfaces defined in the
domain layer.
"""
