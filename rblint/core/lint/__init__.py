# RbLint lint core
