"""Core modules for deploykit: configuration, tool execution and services."""
