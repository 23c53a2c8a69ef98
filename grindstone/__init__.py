"""
Grindstone - a tiny from-scratch PPO actor-critic that learns to grind a
turn-based melee combat simulation.
"""
