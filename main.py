from grindstone.rl.actor_critic.train import main


if __name__ == "__main__":
    main()
