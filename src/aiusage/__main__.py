from aiusage.cli import main

main()
