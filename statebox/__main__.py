"""
Run the command-line tool as a module: ``python -m statebox list --path ...``.
"""
from statebox.cli import main

if __name__ == '__main__':
    main(prog_name='statebox')
