"""HTTP entrypoint for presigned URL generation."""
