from ykdash.interface.main import main


main()
