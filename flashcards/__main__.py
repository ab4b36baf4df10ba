"""
Entry point for running the flashcards CLI as a module.

Usage:
    python -m flashcards due
    python -m flashcards serve
    python -m flashcards --help
"""
from .cli import main

if __name__ == "__main__":
    main()
