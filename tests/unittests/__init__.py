# This file is part of netapply. See LICENSE file for license information.
