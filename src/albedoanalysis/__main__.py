"""Allows ``python -m albedoanalysis``."""
from albedoanalysis.main import main

if __name__ == "__main__":
    main()
