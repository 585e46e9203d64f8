"""
cairn – build orchestration and dependency resolution for Java workspaces.
"""
__version__ = "0.3.0"
