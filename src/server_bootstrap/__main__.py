from server_bootstrap.main import main

main()
