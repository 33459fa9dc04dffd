"""Discovery, decoding and classification of sourcemap sources."""
