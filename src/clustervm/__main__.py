from clustervm.cli import main

main()
