"""calbot Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - calendar/: event model, link helpers and the iCalendar feed client
  - channels/: MarkdownV2 formatting and the Telegram notifier
  - automation/: reminder tracker, change diff and the scheduler

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/automation/
"""
