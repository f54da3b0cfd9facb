from DataLocker.cli import main

main()
