"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that the feature packages use
(DB pool, the Cloudinary client). Product SQL and request handling live in
`products/`; upload handling and public-id extraction live in `media/`.
"""
