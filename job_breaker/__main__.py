"""Allow ``python -m job_breaker``."""

from job_breaker.cli import main

if __name__ == "__main__":
    main()
