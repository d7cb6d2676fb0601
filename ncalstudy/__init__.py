"""ncalstudy: timed practice sessions over a flat-file question bank.

The package is split the same way the practice flow runs:

- ``bank``: parsing the flat-file bank and normalizing answers
- ``app``: session engine, scheduler, events and the terminal front end
- ``stats``/``results``: scoring and session summaries
- ``storage``: export of answered questions
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
