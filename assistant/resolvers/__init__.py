"""Natural-language value resolvers."""
