from taskrail.cli import main

main()
