"""Services composing business rules with clock, metrics and tracing."""
