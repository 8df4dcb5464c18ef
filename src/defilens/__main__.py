from defilens.cli import main

main()
