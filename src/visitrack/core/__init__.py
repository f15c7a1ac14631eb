"""Core building blocks: exceptions, value objects and shared result types."""
