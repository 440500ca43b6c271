"""Static catalogues: categories, strength scores and AI prompt templates."""
