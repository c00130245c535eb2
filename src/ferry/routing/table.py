"""Route specs of the system module."""

from typing import Any

ROUTES: dict[str, dict[str, Any]] = {
    # Default route
    "default": {
        "name": "default",
        "section": "front",
        "priority": -999,
        "type": "Standard",
        "options": {
            "structure_delimiter": "/",
            "param_delimiter": "/",
            "key_value_delimiter": "-",
            "defaults": {
                "module": "system",
                "controller": "index",
                "action": "index",
            },
        },
    },
    # Home route
    "home": {
        "name": "home",
        "type": "Home",
        "priority": 10000,
        "options": {
            "structure_delimiter": "-",
            "param_delimiter": "/",
            "key_value_delimiter": "-",
        },
    },
    # Admin route
    "admin": {
        "name": "admin",
        # Section, default as "front"
        "section": "admin",
        "priority": 100,
        "type": "Standard",
        "options": {
            "prefix": "/admin",
        },
    },
    # API route
    "api": {
        "name": "api",
        "section": "api",
        "priority": 100,
        "type": "Api",
        "options": {
            "prefix": "/api",
        },
    },
    # Feed route
    "feed": {
        "name": "feed",
        "section": "feed",
        "priority": 100,
        "type": "Feed",
        "options": {
            "prefix": "/feed",
        },
    },
    # System user route
    "sysuser": {
        "name": "sysuser",
        "type": "ferry.routing.strategies.UserRoute",
        "priority": 5,
        "options": {
            "prefix": "/system/user",
        },
    },
}
