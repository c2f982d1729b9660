"""arbor: asynchronous directory-tree loading for terminal file explorers."""
