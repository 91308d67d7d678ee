from willow_bridge.server import main

main()
