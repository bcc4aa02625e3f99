"""Infrastructure layer — scratch files and external service subprocesses."""
