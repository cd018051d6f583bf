"""HTTP primitives — immutable requests and the response types handlers return."""
