"""Main-process code: bootstrap, windows, IPC and services."""
