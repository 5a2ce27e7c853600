"""Request/response models for the HTTP facade."""
