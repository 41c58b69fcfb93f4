from promdebug.cli.main import main

main()
