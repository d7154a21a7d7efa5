"""membank - keeps an AI coding assistant's memory bank up to date.

membank checks a published release of the memory bank, backs up and
replaces system files, asks before touching stack guides the user edited,
and never overwrites user-authored project notes. It also recommends a
technology stack through a short branching questionnaire.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
