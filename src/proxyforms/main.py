"""``python -m proxyforms.main`` runs the same CLI as the ``proxyforms`` script."""

from proxyforms.cli import main

if __name__ == "__main__":
    main()
