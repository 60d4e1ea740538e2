"""Infrastructure layer: tree-sitter parsing, syntax analyzers, path filters, config files."""
