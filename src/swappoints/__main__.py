from swappoints.app import main

main()
