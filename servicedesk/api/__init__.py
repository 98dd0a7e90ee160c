"""HTTP boundary of the service desk."""
