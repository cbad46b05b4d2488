"""Directory Console package.

To use the synchronization engine:
    from directory_console.core.console import UserConsole

To use the directory client directly:
    from directory_console.core.directory import DirectoryClient

To load settings:
    from directory_console.config import load_settings
"""
