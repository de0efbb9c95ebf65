"""WebSocket message handlers package.

Handler modules (chat, ping, presence) are imported explicitly by the
WebSocket router to register their `@router.handler(...)` functions.
"""
