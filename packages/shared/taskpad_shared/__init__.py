"""Pydantic schemas shared between the TaskPad server and client codegen."""
