"""Command-line tools for ragchat.

``python -m ragchat.cli`` manages collections and chats from a terminal:

- ``collections`` -- list document collections with their chunk counts
- ``create``      -- create a collection
- ``ingest``      -- chunk, embed and add text files to a collection
- ``search``      -- similarity search within a collection
- ``chat``        -- interactive chat session on a collection

Heavy imports (providers, Chroma) are deferred inside functions so that
``--help`` stays fast.
"""
