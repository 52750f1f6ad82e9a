"""
remindly: task reminders with validated scheduling and LLM-assisted priorities.

Subpackages:
- reminders: reminder models, SQLite store, scheduler + upcoming poller
- priority: two-tier priority inference (model, then due-date rule)
- tasks: task models, SQLite store, high-level task helpers
- notifications: in-process notification gateway
- llm: OpenAI-compatible completion client and offline stand-in
- cli / connectors: console entry point and command surface
"""
