"""Application services: the scan pipeline and its batch resolution stage."""
