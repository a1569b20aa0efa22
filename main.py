#!/usr/bin/env python3
"""AI Notebook - Application entry point."""

from ai_notebook.main.app import main


if __name__ == "__main__":
    main()
