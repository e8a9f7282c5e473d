"""Core Application Layer: setting orchestration and value conversion.

Connects the domain layer with the infrastructure layer through interfaces.
"""
