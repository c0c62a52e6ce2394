"""Builtin tool exports."""

from app.agent.tools.builtin.execute_command_tool import ExecuteCommandTool
from app.agent.tools.builtin.summary_tool import SummaryTool

__all__ = [
    "ExecuteCommandTool",
    "SummaryTool",
]
