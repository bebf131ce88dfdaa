"""
Inkpress Backend — Services Layer
==================================

What:  Business logic between routes (HTTP) and the database.
How:   Stateless service singletons; each method receives the request's
       AsyncSession and raises InkpressError subclasses on failure.

Service Inventory:
    - AuthService:     registration, login, tokens, profile, password
    - PostService:     listing, search, CRUD, view counting, comments
    - CategoryService: CRUD and the per-category post feed
    - FileService:     image validation, storage, serving and cleanup
    - slugs:           slug generation and uniqueness
"""
