"""Domain Layer: contracts and value objects.

Contains no I/O. Core and infrastructure code depends on the abstractions
defined here rather than on each other.
"""
