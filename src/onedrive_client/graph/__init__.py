"""OneDrive REST API transport, path resolution and listing."""
