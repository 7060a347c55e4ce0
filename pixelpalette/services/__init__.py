"""Pipeline services: imaging, observability, reliability and color processing."""
