"""
Idea Board - 带AI创意助手的无限白板
"""
__version__ = "0.1.0"
