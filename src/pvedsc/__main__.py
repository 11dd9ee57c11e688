"""Allow ``python -m pvedsc``."""

from pvedsc.cli.main import main


if __name__ == "__main__":
    main()
