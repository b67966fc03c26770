"""
Repository package for data access layers.

Each aggregate has a `*RepositoryProtocol` describing its async operations, a
PostgreSQL implementation built on `filmapi.db.session.Database`, and an
in-memory implementation with the same contract:

    films      -> SQLFilmRepository / MemoryFilmRepository
    watchlist  -> SQLWatchlistRepository / MemoryWatchlistRepository

Reference names (genres, actors, directors) go through
`filmapi.repositories.references`; sorting and pagination through
`filmapi.repositories.query`.
"""
