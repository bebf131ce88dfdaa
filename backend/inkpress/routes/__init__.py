"""
Inkpress Backend — API Routes Package
======================================

Route Inventory:
    - auth.py:        /api/auth/*        (register, login, me, profile, password)
    - posts.py:       /api/posts/*       (list, search, my-posts, CRUD, comments)
    - categories.py:  /api/categories/*  (list, lookup, posts feed, admin CRUD)
    - uploads.py:     GET /uploads/{path} (stored post images)
    - health.py:      GET /health

Routes stay thin: read the request, call a service, wrap the result in the
`{success, data}` envelope. Business rules live in services.
"""
