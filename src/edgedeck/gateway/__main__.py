"""Allow running the gateway with: python -m edgedeck.gateway"""

from edgedeck.gateway.serve import main

if __name__ == "__main__":
    main()
