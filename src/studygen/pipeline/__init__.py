"""Pipeline stages and the machinery they drive."""
