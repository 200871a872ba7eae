"""Agent modules for the Bethany companion."""

from .orchestrator import AgentOrchestrator, orchestrator
from .context_assembler import ContextFooter, PromptMode, assemble

__all__ = [
    "AgentOrchestrator",
    "orchestrator",
    "ContextFooter",
    "PromptMode",
    "assemble",
]
