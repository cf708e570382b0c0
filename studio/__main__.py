from studio.runner import main

main()
