"""Reference tables and tunables shipped as versioned JSON files."""
