# AList v3 file API routes; update if the backend changes them.

BASE_URL = "http://localhost:5244"

AUTH = {
    "login": {
        "method": "POST",
        "path": "/api/auth/login",
    },
}

FS = {
    "list": {
        "method": "POST",
        "path": "/api/fs/list",
    },
    "get": {
        "method": "POST",
        "path": "/api/fs/get",
    },
    "put": {
        "method": "PUT",
        "path": "/api/fs/put",
    },
    "mkdir": {
        "method": "POST",
        "path": "/api/fs/mkdir",
    },
    "remove": {
        "method": "POST",
        "path": "/api/fs/remove",
    },
}
