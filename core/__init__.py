"""
Core Module

Contains fundamental functionality:
- fsm: Trade state machine (status, session, transitions, handlers)
- logging: Logging infrastructure
- utils: Environment validation
- event_schemas: Pydantic payloads for structured log events
"""
