"""Model loading, preprocessing and inference."""
