"""In-memory API fake, server-like reactors, failure injection and a reacting client for tests."""