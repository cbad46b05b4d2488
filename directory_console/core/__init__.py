"""Core Business Logic Module

Client-side synchronization engine for the user directory, independent of
any UI or routing framework.

Module Structure:
    - directory/        : Low-level directory API client, token holder, exceptions
    - models.py         : UserRecord / UserPage
    - cache.py          : LocalCache and the bulk (all pages) loader
    - search.py         : Case-insensitive search filter
    - paginator.py      : Fixed-size local pages
    - mutations.py      : Write-through update/delete with merge policy
    - edit_session.py   : Edit session and its deep-link identifier channel
    - console.py        : UserConsole facade used by front ends

Usage Pattern:
    from directory_console.core.console import UserConsole
    from directory_console.core.directory import DirectoryClient

    console = UserConsole(DirectoryClient("https://reqres.in/api"))
    await console.login("eve.holt@reqres.in", "cityslicka")
    view = await console.load()
"""
