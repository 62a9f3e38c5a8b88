"""
ctxgit - versioned, branchable memory for autonomous agents.
"""

__version__ = "0.1.0"
__logo__ = "🌿"
