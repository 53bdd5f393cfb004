from codehash.cli.cli import main

main()
