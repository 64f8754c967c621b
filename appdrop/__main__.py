from appdrop.cli.app import main

main()
