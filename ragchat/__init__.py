"""ragchat -- retrieval-augmented chat over document collections."""

__version__ = "0.1.0"
