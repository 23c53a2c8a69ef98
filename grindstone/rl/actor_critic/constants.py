import torch

DTYPE = torch.float64

# Network shape
INPUT_DIM = 17  # StateVectorizer.FEATURE_COUNT
HIDDEN_UNITS = 32
ACTION_SPACE = 2  # 0: stand, 1: attack

# PPO update
PPO_EPSILON = 0.2        # ratio gate is [1 - eps, 1 + eps]
ENTROPY_BETA = 0.005
ENTROPY_EPS = 1e-12      # also guards the ratio denominator
ADVANTAGE_CLIP = 5.0

# Learning rates
CRITIC_ALPHA = 0.06
ACTOR_ALPHA = 0.04
TRUNK_ALPHA = 0.5 * ACTOR_ALPHA

GAMMA = 0.99
EPOCHS = 4
MAX_EPISODE_STEPS = 999

# Training loop
TRAIN_EPISODES = 1_000_000
TRAIN_LOG_EVERY = 10_000
TRAIN_SEED = 1234
