"""Cross-cutting concerns: exceptions, logging, middleware, security and pagination."""
